"""External probes for the cluster server and the outbound route."""

import logging
import shutil
import subprocess
from typing import Any, Optional, Protocol

import yaml
from kubernetes import client, config
from kubernetes.config import ConfigException

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 5


class ClusterInfoProvider(Protocol):
    def get_server(self) -> Optional[str]:
        """Returns the active context's server URL, or None."""
        ...


class RouteInfoProvider(Protocol):
    def get_source_ip(self) -> Optional[str]:
        """Returns the local address used to reach the probe target, or None."""
        ...


def run_command(*args: str, timeout: float = DEFAULT_PROBE_TIMEOUT) -> Optional[str]:
    """
    Runs a probe command and returns its stripped stdout.

    Returns None if the command is not installed, exits non-zero, times out
    or prints nothing.
    """
    if shutil.which(args[0]) is None:
        logger.debug(f"{args[0]} is not installed, skipping probe.")
        return None

    try:
        result = subprocess.run(list(args), capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.debug(f"{' '.join(args)} timed out after {timeout}s.")
        return None
    except OSError as e:
        logger.debug(f"Could not run {args[0]}: {e}")
        return None

    if result.returncode != 0:
        logger.debug(f"{' '.join(args)} exited with {result.returncode}: {result.stderr.strip()}")
        return None
    return result.stdout.strip() or None


class KubectlClusterInfo:
    """Asks kubectl for the server of the cluster in the current context."""

    def __init__(self, timeout: float = DEFAULT_PROBE_TIMEOUT):
        self.timeout = timeout

    def get_server(self) -> Optional[str]:
        # --minify keeps only the current context, so clusters[0] is its cluster.
        return run_command(
            "kubectl",
            "config",
            "view",
            "--minify",
            "-o",
            "jsonpath={.clusters[0].cluster.server}",
            timeout=self.timeout,
        )


class KubeconfigClusterInfo:
    """Reads the current context's server straight from the kubeconfig file."""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file

    def get_server(self) -> Optional[str]:
        configuration = client.Configuration()
        try:
            config.load_kube_config(
                config_file=self.config_file, client_configuration=configuration
            )
        except (ConfigException, OSError, yaml.YAMLError, TypeError, AttributeError) as e:
            logger.debug(f"Could not load kubeconfig: {e}")
            return None
        return configuration.host or None


class IpRouteInfo:
    """Finds the source address the kernel would use to reach `address`."""

    def __init__(self, address: str = "1.1.1.1", timeout: float = DEFAULT_PROBE_TIMEOUT):
        self.address = address
        self.timeout = timeout

    def get_source_ip(self) -> Optional[str]:
        output = run_command("ip", "route", "get", self.address, timeout=self.timeout)
        if not output:
            return None
        return parse_route_source(output)


def parse_route_source(output: str) -> Optional[str]:
    """
    Extracts the `src` address from `ip route get` output.

    Only routes through a gateway count, e.g.
    `1.1.1.1 via 10.0.0.1 dev eth0 src 10.0.0.5 uid 1000`.
    """
    for line in output.splitlines():
        fields = line.split()
        if "via" not in fields or "src" not in fields:
            continue
        src_index = fields.index("src")
        if src_index < fields.index("via"):
            continue
        if src_index + 1 < len(fields):
            return fields[src_index + 1]
    return None


class StaticClusterInfo:
    def __init__(self, server: Optional[str] = None):
        self.server = server

    def get_server(self) -> Optional[str]:
        return self.server


class StaticRouteInfo:
    def __init__(self, ip: Optional[str] = None):
        self.ip = ip

    def get_source_ip(self) -> Optional[str]:
        return self.ip


def make_cluster_info(settings: dict[str, Any]) -> ClusterInfoProvider:
    kind = settings.get("cluster-probe", "kubectl")
    if kind == "kubeconfig":
        return KubeconfigClusterInfo()
    if kind != "kubectl":
        logger.warning(f"Unknown cluster-probe '{kind}', falling back to kubectl.")
    return KubectlClusterInfo(timeout=settings.get("probe-timeout", DEFAULT_PROBE_TIMEOUT))


def make_route_info(settings: dict[str, Any]) -> RouteInfoProvider:
    return IpRouteInfo(
        address=settings.get("route-probe-address", "1.1.1.1"),
        timeout=settings.get("probe-timeout", DEFAULT_PROBE_TIMEOUT),
    )
