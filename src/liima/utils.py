import logging
import os
from importlib import import_module
from importlib.metadata import PackageNotFoundError, metadata
from urllib.parse import urldefrag, urljoin, urlsplit

import structlog
from opentelemetry import trace
from opentelemetry.instrumentation.logging import LoggingInstrumentor
from opentelemetry.sdk.resources import (
    SERVICE_NAME,
    SERVICE_VERSION,
    Resource,
    get_aggregated_resources,
)
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from url_normalize import url_normalize

from .settings import get_settings

logger = structlog.get_logger(__name__)

EXTRA_RESOURCE_DETECTOR = [
    ("opentelemetry.resource.detector.container", "ContainerResourceDetector")
]
""" List of extra resource detectors to use, if available. """

EXTRA_INSTRUMENTOR = [
    ("opentelemetry.instrumentation.urllib3", "URLLib3Instrumentor"),
    ("opentelemetry.instrumentation.requests", "RequestsInstrumentor"),
    ("opentelemetry.instrumentation.jinja2", "Jinja2Instrumentor"),
]
""" List of extra instrumentors to use, if available. """

HTTP_SCHEMES = ("http", "https")


class InvalidUrl(ValueError):
    """
    Raised when a href cannot be resolved into an absolute URL.
    """

    def __init__(self, href: str | None, reason: str = "unparseable"):
        super().__init__(f"Invalid URL {href!r}: {reason}")
        self.href = href
        self.reason = reason


def clean_url(url: str) -> str:
    """
    Clean the URL to a normalized form.

    :param url: URL to clean
    """
    return url_normalize(url)


def absolute_url(href: str | None, base: str) -> str:
    """
    Resolve a possibly relative `href` against `base`.

    Absolute URLs are returned unchanged.

    :raises InvalidUrl: if `href` is empty or cannot be parsed against `base`.
    """
    if href is None or not href.strip():
        raise InvalidUrl(href, "empty")

    href = href.strip()

    if not urlsplit(base).scheme:
        raise InvalidUrl(href, f"base {base!r} is not absolute")

    try:
        resolved = urljoin(base, href)
        parts = urlsplit(resolved)
        # Accessing the port validates it
        parts.port
    except ValueError as e:
        raise InvalidUrl(href, str(e)) from e

    if not parts.scheme:
        raise InvalidUrl(href, "no scheme")

    return resolved


def page_url(href: str | None, base: str) -> str:
    """
    Resolve a candidate page link into the canonical form used for de-duplication.

    Drops the fragment identifier and refuses anything else than HTTP(S) documents.
    """
    resolved, _ = urldefrag(absolute_url(href, base))

    parts = urlsplit(resolved)
    if parts.scheme.lower() not in HTTP_SCHEMES:
        raise InvalidUrl(href, f"unsupported scheme {parts.scheme!r}")
    if not parts.netloc:
        raise InvalidUrl(href, "no host")

    try:
        return clean_url(resolved)
    except ValueError as e:
        # url_normalize IDNA-encodes the host
        raise InvalidUrl(href, str(e)) from e


def origin(url: str) -> str:
    """
    Origin (scheme and authority) of the URL, e.g. ``https://www.golem.de``.
    """
    parts = urlsplit(url)
    return f"{parts.scheme.lower()}://{parts.netloc.lower()}"


def is_same_origin(url: str, other: str) -> bool:
    return origin(url) == origin(other)


def normalize_srcset(srcset: str, base: str) -> str:
    """
    Resolve every candidate of a `srcset` attribute, preserving the width or density descriptors.

    ``"a.jpg 1x, /b.jpg 2x"`` -> ``"https://site/a.jpg 1x, https://site/b.jpg 2x"``
    """
    candidates = []
    for part in srcset.split(","):
        part = part.strip()
        if not part:
            continue

        href, *descriptor = part.split(None, 1)
        try:
            href = absolute_url(href, base)
        except InvalidUrl:
            logger.debug("Keeping unresolvable srcset candidate %r", href)

        candidates.append(" ".join([href, *descriptor]))

    return ", ".join(candidates)


def setup_logging(debug: bool | None = None):
    settings = get_settings()
    if debug is None:
        debug = settings.DEBUG

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            add_open_telemetry_spans,  # Add OpenTelemetry context to logs
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        pass_foreign_args=True,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer()
        ],
    )
    handler = logging.StreamHandler()

    # Use OUR `ProcessorFormatter` to format all `logging` entries.
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.LOGGING_LEVEL)

    LoggingInstrumentor().instrument()

    # Set the top-level module to DEBUG if debug is True
    if debug:
        logging.getLogger(__package__).setLevel(logging.DEBUG)


def add_open_telemetry_spans(_, __, event_dict):
    span = trace.get_current_span()
    if not span.is_recording():
        event_dict["span"] = None
        return event_dict

    ctx = span.get_span_context()
    parent = getattr(span, "parent", None)

    event_dict["span"] = {
        "span_id": hex(ctx.span_id),
        "trace_id": hex(ctx.trace_id),
        "parent_span_id": None if not parent else hex(parent.span_id),
    }

    return event_dict


def setup_tracing(name: str = __package__):
    """
    Setup OpenTelemetry tracing.

    Tracing is enabled by default, but can be disabled by setting the `TRACING_ENABLED` setting to `False`.
    Spans are exported only when `OTEL_EXPORTER_OTLP_ENDPOINT` is set.
    """

    if not get_settings().TRACING_ENABLED:
        logger.debug("Tracing is disabled")
        return None

    try:
        version = metadata(name)["Version"]
    except PackageNotFoundError:
        version = "0.0.0"

    # Collect resources
    resource = Resource.create({
        SERVICE_NAME: name,
        SERVICE_VERSION: version,
    })
    resources = []
    for detector_pkg, cls in EXTRA_RESOURCE_DETECTOR:
        try:
            mod = import_module(detector_pkg)
        except ImportError as e:
            logger.debug("Detector %s.%s not found: %s", detector_pkg, cls, e)
            continue
        resources.append(getattr(mod, cls)().detect())
    resource = get_aggregated_resources(resources, resource)

    trace_provider = TracerProvider(resource=resource)

    if otel_endpoint := os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"):
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import (
            OTLPSpanExporter,
        )
        logger.debug("Setting tracing target to %s", otel_endpoint)
        exporter = OTLPSpanExporter(endpoint=otel_endpoint)
        trace_provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(trace_provider)
    tracer = trace.get_tracer(name, version, tracer_provider=trace_provider)

    for instrumentor_pkg, cls in EXTRA_INSTRUMENTOR:
        try:
            mod = import_module(instrumentor_pkg)
        except ImportError as e:
            logger.debug("Instrumentor %s.%s not found: %s", instrumentor_pkg, cls, e)
            continue
        getattr(mod, cls)().instrument()

    return tracer
