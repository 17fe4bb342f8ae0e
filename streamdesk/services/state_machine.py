from enum import Enum


class Service(str, Enum):
    NETFLIX = "Netflix"
    PRIME_VIDEO = "PrimeVideo"


class FlowState(str, Enum):
    IDLE = "idle"
    AWAITING_TV_EMAIL_PICK = "awaiting_tv_email_pick"
    AWAITING_EMAIL_PICK = "awaiting_email_pick"
    MANUAL_EMAIL_ENTRY = "manual_email_entry"
    AWAITING_TV_CODE = "awaiting_tv_code"


class FlowStep(str, Enum):
    """What the orchestrator does with one inbound message, in precedence order."""

    WELCOME = "welcome"
    TV_EMAIL_PICK = "tv_email_pick"
    EMAIL_PICK = "email_pick"
    ACCOUNT_DATA = "account_data"
    SERVICE_LOOKUP = "service_lookup"
    TV_LOOKUP = "tv_lookup"
    MANUAL_EMAIL = "manual_email"
    TV_CODE = "tv_code"
    MENU_REQUEST = "menu_request"
    FALLBACK = "fallback"


MENU_TRIGGER = "menu"
MENU_OPTION_PREFIX = "menu_"

OPTION_ACCOUNT_DATA = "0"
OPTION_TV_CODE = "2"
MENU_SERVICES = {
    "1": Service.NETFLIX,
    "3": Service.PRIME_VIDEO,
}
TV_SERVICE = Service.NETFLIX

_MENU_RESELECT = [
    FlowState.AWAITING_EMAIL_PICK,
    FlowState.AWAITING_TV_EMAIL_PICK,
    FlowState.MANUAL_EMAIL_ENTRY,
    FlowState.AWAITING_TV_CODE,
]

VALID_TRANSITIONS = {
    FlowState.IDLE: list(_MENU_RESELECT),
    FlowState.MANUAL_EMAIL_ENTRY: [FlowState.IDLE, *_MENU_RESELECT],
    FlowState.AWAITING_TV_CODE: [FlowState.IDLE, *_MENU_RESELECT],
    FlowState.AWAITING_TV_EMAIL_PICK: [FlowState.IDLE, FlowState.AWAITING_TV_CODE],
    FlowState.AWAITING_EMAIL_PICK: [FlowState.IDLE],
}


class InvalidTransitionError(Exception):
    def __init__(self, from_state: FlowState, to_state: FlowState):
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Invalid transition: {from_state.value} -> {to_state.value}")


def can_transition(from_state: FlowState, to_state: FlowState) -> bool:
    """Check if transition is valid."""
    allowed = VALID_TRANSITIONS.get(from_state, [])
    return to_state in allowed


def transition(from_state: FlowState, to_state: FlowState) -> FlowState:
    """Perform state transition. Raises InvalidTransitionError if not allowed."""
    if not can_transition(from_state, to_state):
        raise InvalidTransitionError(from_state, to_state)
    return to_state


def menu_option(text: str) -> str:
    """Button and list replies arrive as `menu_<n>`."""
    if text.startswith(MENU_OPTION_PREFIX):
        return text[len(MENU_OPTION_PREFIX):]
    return text


def resolve_step(*, welcomed: bool, state: FlowState, text: str) -> FlowStep:
    """Pick the step for an inbound message.

    Order matters: pending email picks consume numeric replies before they can
    be read as menu options, and menu options win over free-text states.
    """
    if not welcomed:
        return FlowStep.WELCOME
    if state == FlowState.AWAITING_TV_EMAIL_PICK:
        return FlowStep.TV_EMAIL_PICK
    if state == FlowState.AWAITING_EMAIL_PICK:
        return FlowStep.EMAIL_PICK

    option = menu_option(text)
    if option == OPTION_ACCOUNT_DATA:
        return FlowStep.ACCOUNT_DATA
    if option in MENU_SERVICES:
        return FlowStep.SERVICE_LOOKUP
    if option == OPTION_TV_CODE:
        return FlowStep.TV_LOOKUP

    if state == FlowState.MANUAL_EMAIL_ENTRY:
        return FlowStep.MANUAL_EMAIL
    if state == FlowState.AWAITING_TV_CODE:
        return FlowStep.TV_CODE
    if text == MENU_TRIGGER:
        return FlowStep.MENU_REQUEST
    return FlowStep.FALLBACK


def parse_choice(text: str, options: list[str]) -> str | None:
    """1-based numeric pick checked against the live candidate list."""
    candidate = text.strip()
    if not candidate.isdigit():
        return None
    index = int(candidate)
    if index < 1 or index > len(options):
        return None
    return options[index - 1]
