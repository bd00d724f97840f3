# Storage backends for esmetrics
from .es_backend import BulkItemResult, ElasticsearchBackend

__all__ = ["BulkItemResult", "ElasticsearchBackend"]
