# Alert pipeline services
from hazardwatch.services.alert_engine import AlertEngine
from hazardwatch.services.notification_channels import (
    AudibleChannel,
    ChannelError,
    ChannelSet,
    PushChannel,
    VisualChannel,
)
from hazardwatch.services.persistence import (
    DatabaseSink,
    MemorySink,
    PersistenceError,
    PersistenceSink,
)

__all__ = [
    "AlertEngine",
    "AudibleChannel",
    "ChannelError",
    "ChannelSet",
    "DatabaseSink",
    "MemorySink",
    "PersistenceError",
    "PersistenceSink",
    "PushChannel",
    "VisualChannel",
]
