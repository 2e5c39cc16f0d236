"""Interaction manager factory and exports.

This package holds the composite actions for each automation mode, built on
the same base manager (interaction flag, cooldown, fallback taps).

Usage:
    from interactions import get_interaction_manager, InteractionMode

    manager = get_interaction_manager(
        InteractionMode.LIVE_INTERACTION,
        registry, probe, dispatcher, settings, stats=aggregator,
    )
    manager.start()
"""
from .base_interaction import (
    ActionResult,
    BaseInteractionManager,
    InteractionMode,
    InteractionType,
    effective_probability,
)

__all__ = [
    'ActionResult',
    'BaseInteractionManager',
    'InteractionMode',
    'InteractionType',
    'effective_probability',
    'get_interaction_manager',
]


def get_interaction_manager(mode: InteractionMode, *args, **kwargs) -> BaseInteractionManager:
    """Factory function to get the manager for a mode.

    Args:
        mode: ACCOUNT_NURTURING or LIVE_INTERACTION.
        *args: registry, probe, dispatcher, settings (see BaseInteractionManager).
        **kwargs: Passed to the manager constructor:
            - stats, rng, sleep, flow_logger (all managers)
            - keyword_store, text_reader (ACCOUNT_NURTURING only)

    Returns:
        BaseInteractionManager implementation for the mode.

    Raises:
        ValueError: If mode has no manager.
    """
    if mode == InteractionMode.ACCOUNT_NURTURING:
        from .video_interaction import VideoInteractionManager
        return VideoInteractionManager(*args, **kwargs)

    elif mode == InteractionMode.LIVE_INTERACTION:
        kwargs.pop('keyword_store', None)
        kwargs.pop('text_reader', None)
        from .live_interaction import LiveInteractionManager
        return LiveInteractionManager(*args, **kwargs)

    else:
        raise ValueError(
            f"No interaction manager for mode: {mode}. "
            f"Supported modes: ACCOUNT_NURTURING, LIVE_INTERACTION"
        )
