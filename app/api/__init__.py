"""
JSON API blueprints for the loyalty portal.
"""
