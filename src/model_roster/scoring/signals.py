"""External signal lookup shared by both scoring engines."""

from typing import Optional

from ..metadata.aliases import build_model_key_aliases
from ..metadata.types import ExternalSignal, ModelRecord, SignalMap


def find_signal(
    model: ModelRecord,
    signals: Optional[SignalMap],
) -> Optional[ExternalSignal]:
    """Return the signal of the first alias of the model found in the map.

    Alias order follows build_model_key_aliases; changing that order changes
    which signal wins when several aliases are present.
    """
    if not signals:
        return None
    for alias in build_model_key_aliases(model.full_id):
        signal = signals.get(alias)
        if signal is not None:
            return signal
    return None


def blended_price(signal: Optional[ExternalSignal]) -> float:
    """Blend input and output price 3:1, falling back to whichever exists."""
    if signal is None:
        return 0.0
    if signal.input_price_per_1m is not None and signal.output_price_per_1m is not None:
        return signal.input_price_per_1m * 0.75 + signal.output_price_per_1m * 0.25
    if signal.input_price_per_1m is not None:
        return signal.input_price_per_1m
    if signal.output_price_per_1m is not None:
        return signal.output_price_per_1m
    return 0.0
