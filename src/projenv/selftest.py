"""
Scenario checks behind `projenv selftest`.

Each scenario builds its own `ResolverConfig` and stub probes, so nothing in
the process environment is read or changed. The run stops at the first
failed expectation.
"""
import os
from typing import Optional

from rich.console import Console

from .config import CI_VENDORS, CISignal, ResolverConfig
from .errors import SelfTestFailure
from .probes import StaticClusterInfo, StaticRouteInfo
from .resolver import (
    build_environment,
    is_local_cluster,
    resolve_ci_tag,
    resolve_image,
    resolve_namespace,
    resolve_project_root,
    resolve_repository,
    unique_name,
)

NO_CLUSTER = StaticClusterInfo(None)
LOCAL_CLUSTER = StaticClusterInfo("https://127.0.0.1")
REMOTE_CLUSTER = StaticClusterInfo("https://somecluster.hcp.someregion.azmk8s.io:443")
NO_ROUTE = StaticRouteInfo(None)


def expect(condition: bool, message: str) -> None:
    if not condition:
        raise SelfTestFailure(message)


def ci_signals(vendor: Optional[str] = None, build_number: str = "", commit: str = "") -> tuple[CISignal, ...]:
    """CI signals with every vendor cleared except, optionally, `vendor`."""
    signals = []
    for name, _, _ in CI_VENDORS:
        if name == vendor:
            signals.append(CISignal(name, build_number, commit))
        else:
            signals.append(CISignal(name))
    return tuple(signals)


def image_for(config: ResolverConfig, root: str, cluster_info=NO_CLUSTER) -> str:
    namespace = resolve_namespace(config.namespace, root)
    repository = resolve_repository(config.docker_repo, cluster_info, namespace, root)
    return resolve_image(repository, resolve_ci_tag(config))


def environment_for(config: ResolverConfig, cluster_info) -> dict[str, str]:
    return dict(
        build_environment(config, cluster_info, NO_ROUTE, hostname=lambda: "selftest")
    )


def run_selftest(cwd: Optional[str] = None, console: Optional[Console] = None) -> None:
    """
    Runs every scenario in order.

    Raises:
        SelfTestFailure: On the first expectation that does not hold.
    """
    if console is None:
        console = Console(stderr=True)
    log = console.print

    log("Performing a self test")

    log("Testing detecting local k8s servers.")
    expect(is_local_cluster("https://127.0.0.1:14443"), "Didn't detect local k8s server from string.")
    expect(
        not is_local_cluster("https://somecluster.hcp.someregion.azmk8s.io:443"),
        "Detected an AKS server as a local k8s.",
    )
    expect(not is_local_cluster(""), "Detected no server name as a local server.")

    log("Testing that the default project root dir is the pwd.")
    proj_root = os.path.realpath(cwd or os.getcwd())
    root = resolve_project_root(cwd)
    expect(root == proj_root, f"Project root dir was {root} but it should be {proj_root}.")

    log("Testing that unique names include parts of the project root dir.")
    dirname = os.path.basename(proj_root)
    expect(dirname in unique_name(root), "Unique name should include the project dir name.")

    image_cases = [
        ("a bitbucket pipeline", "bitbucket", None, "reponame:build-999-feedbee"),
        ("an explicit tag override", None, "latest", "reponame:latest"),
        ("a travis ci", "travis", None, "reponame:build-999-feedbee"),
        ("a circle ci", "circle", None, "reponame:build-999-feedbee"),
    ]
    for description, vendor, tag, expected in image_cases:
        log(f"Testing docker image name in {description}.")
        config = ResolverConfig(
            docker_repo="reponame",
            docker_tag=tag,
            ci_signals=ci_signals(vendor, "999", "feedbeef"),
        )
        image = image_for(config, root)
        expect(image == expected, f"Expected {expected} but got {image}.")

    log("Testing namespace name when explicitly set.")
    namespace = resolve_namespace("somens-dev", root)
    expect(namespace == "somens-dev", f"Expected explicit ns to be somens-dev. Got {namespace}.")

    log("Testing namespace name when using a default value.")
    namespace = resolve_namespace(None, root)
    expect(dirname in namespace, f"Default namespace didn't include {dirname}. Got {namespace}.")

    log(
        "Story: Building a docker image on a dev workstation without kubernetes configured "
        "should result in a unique image name without any repo server."
    )
    env = environment_for(ResolverConfig(proj_root="/tmp", ci_signals=ci_signals()), NO_CLUSTER)
    expect(
        env["PROJ_DOCKER_IMAGE"] == "tmp:latest",
        f"Expected docker image to be tmp:latest. Got {env['PROJ_DOCKER_IMAGE']}.",
    )

    log(
        "Story: Building a docker image on a dev with a local kubernetes should result in a "
        "unique name on a local docker repo and the same unique name as a namespace."
    )
    env = environment_for(ResolverConfig(proj_root="/tmp", ci_signals=ci_signals()), LOCAL_CLUSTER)
    log(env)
    expect(
        env["PROJ_DOCKER_IMAGE"] == "localhost:32000/tmp:latest",
        f"Image name for local k8s should be localhost:32000/tmp:latest. Got {env['PROJ_DOCKER_IMAGE']}.",
    )
    expect(
        env["PROJ_NAMESPACE"] == "tmp",
        f"Namespace for local k8s should be tmp. Got {env['PROJ_NAMESPACE']}.",
    )

    log(
        "Story: Building a docker image in a bitbucket build pipeline should yield an explicit "
        "repo name with build info in the tag and an explicit namespace."
    )
    config = ResolverConfig(
        proj_root=root,
        namespace="somens",
        docker_repo="reponame",
        ci_signals=ci_signals("bitbucket", "999", "feedbeef"),
    )
    env = environment_for(config, REMOTE_CLUSTER)
    log(env)
    expect(
        env["PROJ_DOCKER_IMAGE"] == "reponame:build-999-feedbee",
        f"Bitbucket pipeline image name should be reponame:build-999-feedbee. Got {env['PROJ_DOCKER_IMAGE']}.",
    )
    expect(
        env["PROJ_NAMESPACE"] == "somens",
        f"Bitbucket pipeline namespace should be somens. Got {env['PROJ_NAMESPACE']}.",
    )

    log("[green]Self test succeeded.[/green]")
