"""ORM metadata for the storefront; engines and sessions live in infrastructure/database.py."""
