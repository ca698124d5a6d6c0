from xqls.remote.client import RemoteService
from xqls.remote.schema import CompileResponse, LookupQuery, RemoteArgument, RemoteItem

__all__ = [
    "CompileResponse",
    "LookupQuery",
    "RemoteArgument",
    "RemoteItem",
    "RemoteService",
]
