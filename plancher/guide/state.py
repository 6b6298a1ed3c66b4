"""
Guide state machine.

State is {active, step}. Every transition is a pure function returning
``(next_state, effects)``; effects are plain dicts the page controller
applies in order:

  {"type": "alert", "message": str}
  {"type": "show_step", "index": int, "total": int, "step": {...},
   "can_go_back": bool, "is_last": bool}
  {"type": "hide_popup"}
  {"type": "clear_highlight"}
  {"type": "controls", "active": bool}
  {"type": "persist", "guideActive": bool, "guideStep": int}

``present`` is the set of step targets found on the page; None means all of
them. Steps whose target is absent are skipped going forward.
"""

NO_GUIDE_MESSAGE = "Aucun guide disponible pour cette page."

STORAGE_ACTIVE = "guideActive"
STORAGE_STEP = "guideStep"


class GuideState:

    def __init__(self, active: bool = False, step: int = 0):
        self.active = bool(active)
        self.step = int(step)

    def to_dict(self) -> dict:
        return {"active": self.active, "step": self.step}

    @classmethod
    def from_dict(cls, data) -> "GuideState":
        data = data or {}
        try:
            step = int(data.get("step") or 0)
        except (TypeError, ValueError):
            step = 0
        return cls(bool(data.get("active")), max(0, step))

    def __eq__(self, other):
        return (isinstance(other, GuideState)
                and (self.active, self.step) == (other.active, other.step))

    def __repr__(self):
        return f"GuideState(active={self.active}, step={self.step})"


def _persist(state: GuideState) -> dict:
    return {"type": "persist", STORAGE_ACTIVE: state.active, STORAGE_STEP: state.step}


def _is_present(step: dict, present) -> bool:
    return present is None or step.get("target") in present


def _stop(step: int):
    state = GuideState(False, step)
    return state, [
        {"type": "hide_popup"},
        {"type": "clear_highlight"},
        {"type": "controls", "active": False},
        _persist(state),
    ]


def _show_from(index: int, steps: list, present):
    """Show the first step at or after index whose target is present."""
    while index < len(steps) and not _is_present(steps[index], present):
        index += 1
    if index >= len(steps):
        return _stop(index)
    state = GuideState(True, index)
    return state, [
        {"type": "clear_highlight"},
        {"type": "show_step", "index": index, "total": len(steps), "step": steps[index],
         "can_go_back": index > 0, "is_last": index == len(steps) - 1},
        {"type": "controls", "active": True},
        _persist(state),
    ]


def start(steps: list, present=None):
    if not steps:
        state = GuideState(False, 0)
        return state, [{"type": "alert", "message": NO_GUIDE_MESSAGE}, _persist(state)]
    return _show_from(0, steps, present)


def next_step(state: GuideState, steps: list, present=None):
    """Advance one step; past the last step the guide switches off."""
    if not state.active:
        return state, [_persist(state)]
    return _show_from(state.step + 1, steps, present)


def previous_step(state: GuideState, steps: list, present=None):
    """Back one step, never below 0, skipping steps whose target is absent."""
    if not state.active:
        return state, [_persist(state)]
    index = min(state.step, len(steps)) - 1
    while index > 0 and not _is_present(steps[index], present):
        index -= 1
    return _show_from(max(0, index), steps, present)


def stop(state: GuideState):
    return _stop(state.step)


def cancel(state: GuideState = None):
    """Switch off and reset to the first step."""
    return _stop(0)


def toggle(state: GuideState, steps: list, present=None):
    if state.active:
        return stop(state)
    return start(steps, present)


def restore(storage: dict):
    """Rebuild the state from the two persisted keys only.

    The step index is not checked against the page's current step list.
    """
    storage = storage or {}
    active = str(storage.get(STORAGE_ACTIVE, "")).lower() == "true"
    try:
        step = int(storage.get(STORAGE_STEP) or 0)
    except (TypeError, ValueError):
        step = 0
    if not active:
        return GuideState(False, 0), [{"type": "controls", "active": False}]
    return GuideState(True, step), [{"type": "controls", "active": True}]


TRANSITIONS = {
    "start": lambda state, steps, present: start(steps, present),
    "next": next_step,
    "previous": previous_step,
    "stop": lambda state, steps, present: stop(state),
    "cancel": lambda state, steps, present: cancel(state),
    "toggle": toggle,
}


def apply(action: str, state: GuideState, steps: list, present=None):
    """Dispatch a named transition. Raises KeyError for an unknown action."""
    return TRANSITIONS[action](state, steps, present)
