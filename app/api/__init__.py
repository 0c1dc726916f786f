"""HTTP API: versioned routers plus health endpoints"""
