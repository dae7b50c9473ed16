from dreamcpp.errors import Failure
from dreamcpp.index import IndexEntry, IndexSnapshot, RemoteIndexFetcher
from dreamcpp.manifest import Dependency, Manifest, load_manifest, save_manifest
from dreamcpp.project import ProjectContext, create_project, open_project
from dreamcpp.resolver import Resolver, lookup

__all__ = [
    "Dependency",
    "Failure",
    "IndexEntry",
    "IndexSnapshot",
    "Manifest",
    "ProjectContext",
    "RemoteIndexFetcher",
    "Resolver",
    "create_project",
    "load_manifest",
    "lookup",
    "open_project",
    "save_manifest",
]
