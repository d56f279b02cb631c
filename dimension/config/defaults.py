"""Default engine and match configuration.

Used by tests and one-off scripts that want every knob spelled out rather
than relying on the schema's field defaults.
"""

import logging

from dimension.config.schema import EngineConfig, MatchConfig, TimeoutConfig
from dimension.core.types import FinishPolicy


def default_engine_config() -> EngineConfig:
    """Return a complete, valid engine config (sentinel-terminated turns, 1s timeout)."""
    return EngineConfig(
        command_finish_policy=FinishPolicy.FINISH_SYMBOL,
        command_lines=1,
        delimiter=",",
        finish_symbol="D_FINISH",
        timeout=TimeoutConfig(
            active=True,
            max=1.0,
            lag_tolerance=0.025,
        ),
    )


def default_match_config(**design_options) -> MatchConfig:
    """Return a complete, valid match config; keyword args become design options."""
    return MatchConfig(
        name=None,
        engine=default_engine_config(),
        logging_level=logging.INFO,
        design_options=dict(design_options),
    )
