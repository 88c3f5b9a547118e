"""Team domain - teams, members and roles"""
