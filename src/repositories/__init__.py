"""Repository helpers that translate ORM rows to domain snapshots."""
