# dao/errors.py
"""Error taxonomy of the production engine.

All errors derive from ValueError so callers that already handle
validation failures keep working.
"""


class EngineError(ValueError):
    pass


class RecordNotFound(EngineError):
    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} #{entity_id} not found.")


class InvalidTransition(EngineError):
    def __init__(self, entity: str, entity_id, current, requested):
        self.entity = entity
        self.entity_id = entity_id
        self.current = getattr(current, "value", current)
        self.requested = getattr(requested, "value", requested)
        super().__init__(
            f"{entity} #{entity_id}: cannot move from "
            f"'{self.current}' to '{self.requested}'."
        )


class ConcurrentUpdateError(EngineError):
    """Row changed underneath us; retry with fresh state."""

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} #{entity_id} was modified concurrently, reload and retry."
        )


class DeletionBlocked(EngineError):
    def __init__(self, entity: str, entity_id, status):
        self.entity = entity
        self.entity_id = entity_id
        self.status = getattr(status, "value", status)
        super().__init__(
            f"{entity} #{entity_id} cannot be deleted in status '{self.status}'."
        )
