"""Invitation domain - inviting people to teams by e-mail"""
