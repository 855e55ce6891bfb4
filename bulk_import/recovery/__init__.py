from bulk_import.recovery.checkpoints import CheckpointStore, parse_max_age
from bulk_import.recovery.retry import retry_operation
from bulk_import.recovery.schemas import Checkpoint

__all__ = ["Checkpoint", "CheckpointStore", "parse_max_age", "retry_operation"]
