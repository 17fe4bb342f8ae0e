from streamdesk.services.transport.base import (
    ConnectionStatus,
    MessagingTransport,
    PresenceState,
    TransportError,
)
from streamdesk.services.transport.chatflow_transport import ChatFlowTransport
from streamdesk.services.transport.supervisor import ConnectionSupervisor

__all__ = [
    "ChatFlowTransport",
    "ConnectionStatus",
    "ConnectionSupervisor",
    "MessagingTransport",
    "PresenceState",
    "TransportError",
]
