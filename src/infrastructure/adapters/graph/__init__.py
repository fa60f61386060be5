from .graph_client import create_graph_client, resolve_user_id
from .graph_presence_provider import GraphPresenceProvider
from .graph_out_of_office_provider import GraphOutOfOfficeProvider
from .graph_directory import MsGraphDirectory

__all__ = [
    "create_graph_client",
    "resolve_user_id",
    "GraphPresenceProvider",
    "GraphOutOfOfficeProvider",
    "MsGraphDirectory",
]
