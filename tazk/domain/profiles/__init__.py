"""Profile domain - the signed-in user's profile"""
