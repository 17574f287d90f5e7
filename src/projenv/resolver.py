"""
Derivation of project naming values.

Every value is computed from a `ResolverConfig` plus two injected probes, so
the same inputs always produce the same output. Only an unusable project root
is fatal; probes that find nothing degrade to empty strings.
"""
import logging
import os
import re
import socket
from typing import Callable, Iterable, Optional

from .config import DEFAULT_CONFIG, ResolverConfig
from .errors import PathError
from .probes import ClusterInfoProvider, RouteInfoProvider

logger = logging.getLogger(__name__)

LOCAL_CLUSTER_PATTERN = re.compile(r"http.*//127|localhost")
LOCAL_REGISTRY = DEFAULT_CONFIG["local-registry"]
DEFAULT_TAG = "latest"
COMMIT_PREFIX_LENGTH = 7

ENVIRONMENT_KEYS = (
    "PROJ_HOST",
    "PROJ_NAMESPACE",
    "PROJ_ROOT",
    "PROJ_DOCKER_IMAGE",
    "PROJ_IP",
)


def resolve_project_root(override: Optional[str] = None) -> str:
    """Returns the canonical absolute project root, defaulting to the cwd."""
    path = override
    try:
        path = path or os.getcwd()
        root = os.path.realpath(path, strict=True)
    except OSError as e:
        raise PathError(f"Project root {path or '.'} does not exist or cannot be resolved: {e.strerror}")
    return root


def unique_name(root: str) -> str:
    slug = root.replace("/", "-")
    if slug.startswith("-"):
        slug = slug[1:]
    return slug


def resolve_namespace(override: Optional[str], root: str) -> str:
    if override:
        return override
    return unique_name(root)


def query_cluster_server(cluster_info: ClusterInfoProvider) -> str:
    return cluster_info.get_server() or ""


def is_local_cluster(url: Optional[str]) -> bool:
    """
    Detects a single-node development cluster such as microk8s.

    An empty URL means the server is unknown, which is not the same as local.
    """
    if not url:
        return False
    return LOCAL_CLUSTER_PATTERN.search(url) is not None


def resolve_repository(
    override: Optional[str],
    cluster_info: ClusterInfoProvider,
    namespace: str,
    root: str,
    local_registry: str = LOCAL_REGISTRY,
) -> str:
    """
    Repository name for the docker image.

    An explicit repository wins. On a local cluster the image goes to the
    cluster's registry under the namespace. Otherwise the unique name is used.
    """
    if override:
        return override
    server = query_cluster_server(cluster_info)
    if is_local_cluster(server):
        logger.debug(f"Cluster server {server} is local, using {local_registry}.")
        return f"{local_registry}/{namespace}"
    return unique_name(root)


def first_non_empty(values: Iterable[Optional[str]]) -> str:
    for value in values:
        if value:
            return value
    return ""


def resolve_tag(override: Optional[str], build_number: str, commit: str) -> str:
    if override:
        return override
    if build_number:
        return f"build-{build_number}-{commit[:COMMIT_PREFIX_LENGTH]}"
    return DEFAULT_TAG


def resolve_ci_tag(config: ResolverConfig) -> str:
    """Resolves the tag using the first CI vendor that reports each value."""
    build_number = first_non_empty(s.build_number for s in config.ci_signals)
    commit = first_non_empty(s.commit for s in config.ci_signals)
    return resolve_tag(config.docker_tag, build_number, commit)


def resolve_image(repository: str, tag: str) -> str:
    return f"{repository}:{tag}"


def resolve_host(namespace: str, hostname: Callable[[], str] = socket.gethostname) -> str:
    return f"{namespace}.{hostname()}"


def query_external_ip(route_info: RouteInfoProvider) -> str:
    return route_info.get_source_ip() or ""


def build_environment(
    config: ResolverConfig,
    cluster_info: ClusterInfoProvider,
    route_info: RouteInfoProvider,
    hostname: Callable[[], str] = socket.gethostname,
    local_registry: str = LOCAL_REGISTRY,
) -> list[tuple[str, str]]:
    """
    Computes the five project variables in their output order.

    Raises:
        PathError: If the project root cannot be resolved.
    """
    root = resolve_project_root(config.proj_root)
    namespace = resolve_namespace(config.namespace, root)
    repository = resolve_repository(
        config.docker_repo, cluster_info, namespace, root, local_registry=local_registry
    )
    image = resolve_image(repository, resolve_ci_tag(config))

    values = (
        resolve_host(namespace, hostname),
        namespace,
        root,
        image,
        query_external_ip(route_info),
    )
    return list(zip(ENVIRONMENT_KEYS, values))


def format_environment(pairs: Iterable[tuple[str, str]]) -> str:
    return "".join(f"{key}={value}\n" for key, value in pairs)
