"""
Companies module.

Customers link to companies through `Customer.company_ids`; this module only
owns company creation and lookup.
"""
