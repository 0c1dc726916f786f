"""Store layer: query and write helpers over the referral models"""
