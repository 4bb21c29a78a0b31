"""Multi-tenant task tracking core: tasks, users, access rules and reporting."""

__version__ = "0.3.0"
