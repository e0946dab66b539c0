"""Persistence: engine/session, catalog models, dynamic SQL, repositories, migrations."""
