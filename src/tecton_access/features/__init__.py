"""Feature modules: reconciliation, declared policies and workspaces."""
