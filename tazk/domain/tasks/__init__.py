"""Task domain - task CRUD and its side effects"""
