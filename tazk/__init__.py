"""Tazk - multi-tenant task management API"""
