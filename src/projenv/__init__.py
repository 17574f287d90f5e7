"""
Convention-based project naming for build pipelines.

Derives a Kubernetes namespace, hostname, docker image and outbound IP from
the project's location and the CI environment.
"""

__version__ = "0.1.0"
