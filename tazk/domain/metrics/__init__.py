"""Metrics domain - dashboard aggregates"""
