"""Engage (campaign) messages and the customers each one was delivered to."""
