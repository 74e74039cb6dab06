"""Prometheus metrics definitions for the Microsoft 365 mailer."""

from prometheus_client import Counter, Histogram

# Counter metrics
graph_emails_sent_total = Counter(
    "graph_emails_sent_total",
    "Total number of emails handed to Microsoft Graph",
    ["path", "status"],  # path: direct, staged; status: success, failed
)

graph_api_errors_total = Counter(
    "graph_api_errors_total",
    "Total number of send failures by translated error type",
    ["error_type"],  # unreachable, rejected, failed
)

graph_upload_chunks_total = Counter(
    "graph_upload_chunks_total",
    "Total number of attachment chunks uploaded",
)

graph_upload_bytes_total = Counter(
    "graph_upload_bytes_total",
    "Total number of attachment bytes uploaded through upload sessions",
)

# Histogram metrics
graph_api_latency_seconds = Histogram(
    "graph_api_latency_seconds",
    "Microsoft Graph API request latency in seconds",
    ["endpoint", "status"],  # endpoint: token, send_mail, create_message, ...
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0),
)

graph_attachment_size_bytes = Histogram(
    "graph_attachment_size_bytes",
    "Attachment size in bytes",
    ["kind"],  # inline, large
    buckets=(10240, 102400, 1048576, 3145728, 10485760, 26214400, 157286400),  # 10KB to 150MB
)
