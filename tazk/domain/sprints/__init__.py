"""Sprint domain - time-boxed groups of tasks and the backlog"""
