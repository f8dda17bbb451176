from .database import init_db, get_session, session_scope
from .dataset import Dataset
from .models import DatasetItem, Request
from .queue import RequestQueue

__all__ = ["init_db", "get_session", "session_scope", "Dataset", "DatasetItem", "Request", "RequestQueue"]
