"""Messenger conversations and their messages, keyed by customer."""
