"""Opt-in gates for learning signals."""

from pydantic import BaseModel


class SignalPolicy(BaseModel):
    """Controls whether learning signals may influence practice behavior.

    Everything is off by default. When ``guided_mode`` is off, no flag is
    effective regardless of its own value.
    """

    guided_mode: bool = False
    signals_affect_selection: bool = False
    # Reserved: never consulted by the engine yet
    signals_affect_difficulty: bool = False
    signals_affect_xp: bool = False

    @property
    def effective_selection_bias(self) -> bool:
        return self.guided_mode and self.signals_affect_selection

    @property
    def effective_difficulty_influence(self) -> bool:
        return self.guided_mode and self.signals_affect_difficulty

    @property
    def effective_xp_influence(self) -> bool:
        return self.guided_mode and self.signals_affect_xp

    def enable_guided_mode(self) -> None:
        """Turn on guided mode with selection bias only."""
        self.guided_mode = True
        self.signals_affect_selection = True
        self.signals_affect_difficulty = False
        self.signals_affect_xp = False

    def disable_guided_mode(self) -> None:
        self.guided_mode = False
