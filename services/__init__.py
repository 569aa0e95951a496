"""
Token lifecycle services: issuance and rotation, the signup/login/refresh
boundary, and the expired-token sweeper.
"""
