"""
Task subsystem.

Components:
- task_models.py: data structures (Task, PersistedSnapshot)
- task_store.py: in-memory ordered store with validation
- task_persistence.py: JSON file storage + save scheduling (SnapshotWriter)
"""
