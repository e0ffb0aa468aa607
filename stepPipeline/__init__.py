"""
Typed step pipeline: contract-checked steps composed into a linear pipeline.
"""

from .step import Step, create_step
from .stream_aggregator import StreamAggregator, aggregate
from .pipeline import Pipeline, compose

__all__ = ["Step", "create_step", "StreamAggregator", "aggregate", "Pipeline", "compose"]
