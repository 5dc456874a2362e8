"""Crawler package: config, shared types, and pipeline components."""

from .cache import ResponseCache
from .config import CrawlConfig, load_config, normalize_domain, save_config
from .converter import MarkdownConverter
from .errors import (
    Cancelled,
    ConversionFailure,
    CrawlError,
    ExtractionFailure,
    InvalidStartURL,
    InvalidURL,
    RenderFailure,
)
from .extractor import ContentExtractor, ScoringWeights
from .frontier import Frontier
from .pipeline import Pipeline, crawl
from .rate import RateController, TokenBucket
from .renderer import Renderer, RequestsRenderer, SeleniumRenderer, build_renderer
from .retry import RetryPolicy, is_retryable, retry
from .stats import StatsCollector
from .storage import MarkdownStorage, results_payload, sanitize_filename, write_json
from .types import (
    CrawlStage,
    CrawlState,
    CrawlStats,
    ErrorRecord,
    FetchBackend,
    FrontierItem,
    PageResult,
    RenderErrorKind,
    utc_now_iso,
)
from .url import (
    extract_links,
    host_from_url,
    is_in_scope,
    is_valid_url,
    normalize_url,
    resolve_url,
    same_domain,
)

__all__ = [
    "Cancelled",
    "ContentExtractor",
    "ConversionFailure",
    "CrawlConfig",
    "CrawlError",
    "CrawlStage",
    "CrawlState",
    "CrawlStats",
    "ErrorRecord",
    "ExtractionFailure",
    "FetchBackend",
    "Frontier",
    "FrontierItem",
    "InvalidStartURL",
    "InvalidURL",
    "MarkdownConverter",
    "MarkdownStorage",
    "PageResult",
    "Pipeline",
    "RateController",
    "RenderErrorKind",
    "RenderFailure",
    "Renderer",
    "RequestsRenderer",
    "ResponseCache",
    "RetryPolicy",
    "ScoringWeights",
    "SeleniumRenderer",
    "StatsCollector",
    "TokenBucket",
    "build_renderer",
    "crawl",
    "extract_links",
    "host_from_url",
    "is_in_scope",
    "is_retryable",
    "is_valid_url",
    "load_config",
    "normalize_domain",
    "normalize_url",
    "resolve_url",
    "results_payload",
    "retry",
    "same_domain",
    "sanitize_filename",
    "save_config",
    "utc_now_iso",
    "write_json",
]
