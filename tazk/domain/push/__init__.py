"""Push domain - Web Push subscriptions and fan-out"""
