from gridsight.services.workspace import WorkspaceStore

_store = WorkspaceStore()


def get_store() -> WorkspaceStore:
    return _store
