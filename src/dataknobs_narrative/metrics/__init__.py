"""Built-in narrative metric plugins, in registration order."""

from . import cad, car, cpsr, cs, csa, eap, nqs, nqs_auto, oi, rq, xai
from .base import scored, skipped

ALL_METRICS = (
    cpsr.DESCRIPTOR,
    csa.DESCRIPTOR,
    cs.DESCRIPTOR,
    cad.DESCRIPTOR,
    oi.DESCRIPTOR,
    eap.DESCRIPTOR,
    car.DESCRIPTOR,
    rq.DESCRIPTOR,
    xai.DESCRIPTOR,
    nqs.DESCRIPTOR,
    nqs_auto.DESCRIPTOR,
)

DEFAULT_METRICS = tuple(d.code for d in ALL_METRICS)

__all__ = ["ALL_METRICS", "DEFAULT_METRICS", "scored", "skipped"]
