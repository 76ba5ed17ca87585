"""Transactional use cases over the store and the caller-facing facade."""
