"""Smokehouse Storefront — retail ordering, catering quotes and payments for Troy BBQ.

Importing the package has no side effects; the app is built in smokehouse/main.py.
"""
