"""
Internal notes module.

Staff-only notes attached to a record (content_type + content_type_id).
Customers are the only content type wired up today.
"""
