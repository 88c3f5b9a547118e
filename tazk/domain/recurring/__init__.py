"""Recurring task domain - rules and the scheduled task generator"""
