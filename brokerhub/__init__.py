"""Wait for brokered services to come online and poll for eventual state."""
from .availability import AvailabilitySignal, SignalState
from .broker import (
    AvailabilityChangedEvent,
    BrokerError,
    LocalBroker,
    RemoteBroker,
    ServiceMoniker,
    ServiceProxy,
)
from .invoker import (
    AttemptOutcome,
    AvailabilityGatedInvoker,
    FatalInconsistencyError,
    HandshakeCancelledError,
)
from .polling import PollTimeoutError, wait_for_condition, wait_until

__version__ = "0.1.0"
