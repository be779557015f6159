# legaldocs/metrics.py
from prometheus_client import Counter

uploads_total = Counter("legaldocs_uploads_total", "Upload requests")
uploads_failed = Counter("legaldocs_uploads_failed", "Uploads aborted at some pipeline step")
conversions_total = Counter("legaldocs_conversions_total", "Files converted by /convert-document")
comparisons_total = Counter("legaldocs_comparisons_total", "Comparison requests")
comparisons_failed = Counter("legaldocs_comparisons_failed", "Comparisons rejected by the vector workflow")
chat_requests_total = Counter("legaldocs_chat_requests_total", "Chat messages relayed", ["channel"])
chat_errors_total = Counter("legaldocs_chat_errors_total", "Chat relays that ended in an error message", ["channel"])
