"""
Infrastructure layer: PostgreSQL pool and RLS helpers, event repositories,
retry policy. Import from the subpackages directly.
"""
