"""Setup orchestration."""

from jetson_setup.core.engine import SetupEngine, AFFIRMATIVE_RESPONSES, is_affirmative
from jetson_setup.core.reporting import Reporter
from jetson_setup.core.verify import Verifier

__all__ = [
    "SetupEngine",
    "AFFIRMATIVE_RESPONSES",
    "is_affirmative",
    "Reporter",
    "Verifier",
]
