"""
Module: sd_showcase.samplers
Purpose: Resolve a requested sampler against the samplers the backend has loaded

The sampler list is fetched on every call. An unknown sampler is replaced
by a fixed fallback instead of failing the generation; the substitution is
logged and reported on the returned SamplerResolution.
"""

from dataclasses import dataclass
from typing import Optional
import logging

from sd_showcase.backend import DiffusionBackend

logger = logging.getLogger(__name__)

FALLBACK_SAMPLER = "Euler a"


@dataclass(frozen=True)
class SamplerResolution:
    """Outcome of a sampler lookup."""
    name: str
    requested: Optional[str]
    substituted: bool


async def resolve_sampler(
    backend: DiffusionBackend,
    requested: Optional[str],
    fallback: str = FALLBACK_SAMPLER,
) -> SamplerResolution:
    """
    Return a sampler name the backend knows.

    Args:
        backend: Backend client used to list samplers
        requested: Desired sampler name
        fallback: Name used when the requested one is unavailable

    Returns:
        SamplerResolution with the effective name

    Raises:
        BackendUnavailable: If the sampler list cannot be fetched
    """
    available = await backend.list_samplers()
    logger.debug(f"Available samplers: {available}")

    if requested and requested in available:
        return SamplerResolution(name=requested, requested=requested, substituted=False)

    logger.warning(f'Sampler "{requested}" not found. Using default: {fallback}')
    return SamplerResolution(name=fallback, requested=requested, substituted=True)
