"""
Utilities Package

Helper functions used across the application:
- pagination.py: counting and slicing a select() into a Page
"""
