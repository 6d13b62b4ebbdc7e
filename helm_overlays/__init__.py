"""helm-overlays - Helm chart value overlays and manifest templates.

Renders the values files and Kubernetes manifests used to configure
third-party cluster components (ingress-nginx, Karpenter node pools,
storage classes, MongoDB/Redis, Grafana, OAuth2 portal ingress) from a
plan of deployment parameters.
"""

try:
    from importlib.metadata import version

    __version__ = version("helm-overlays")
except Exception:
    __version__ = "0.0.0.dev0"

__all__ = ["__version__"]
