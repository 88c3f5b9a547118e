"""Status domain - per-scope task workflow statuses"""
