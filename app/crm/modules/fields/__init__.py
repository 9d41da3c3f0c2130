"""
Custom field definitions and payload cleaning.

Customer records carry a free-form `custom_fields_data` dict keyed by field
id; `clean_multi()` is the only gate that writes into it.
"""
