"""Spikes module: velocity spike detection with cause attribution and decay.

Exports:
    - detect_spike: Trailing-run spike classification against a baseline
    - spike_multiplier_for_day, apply_spike_adjustment: Decay interpolation
    - generate_spike_alert: Operator message for spiking SKUs
    - SpikeDetection, SpikeSignals: Schemas
"""

from app.features.spikes.detector import (
    apply_spike_adjustment,
    attribute_spike_cause,
    detect_spike,
    generate_decay_projection,
    generate_spike_alert,
    spike_multiplier_for_day,
)
from app.features.spikes.schemas import DecayPoint, SpikeAlert, SpikeDetection, SpikeSignals

__all__ = [
    "DecayPoint",
    "SpikeAlert",
    "SpikeDetection",
    "SpikeSignals",
    "apply_spike_adjustment",
    "attribute_spike_cause",
    "detect_spike",
    "generate_decay_projection",
    "generate_spike_alert",
    "spike_multiplier_for_day",
]
