"""Skyscore: identity resolution and windowed activity aggregation for AT Protocol accounts."""

from .config import AppConfig, load_app_config
from .pipeline import AggregationPipeline, PipelineResult, resolve
from .app_factory import create_app

__all__ = ["AppConfig", "load_app_config", "AggregationPipeline", "PipelineResult", "resolve", "create_app"]
