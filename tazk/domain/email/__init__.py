"""Email domain - settings, templates, delivery logs and the send-email function"""
