"""
Core building blocks of the specimen catalog:
- schema: record shape and completeness rules
- protocols: storage and remote interfaces
- storage: JSON and SQLite key-value backends
"""
