"""Activity domain - audit trail of changes to tasks, teams and rules"""
