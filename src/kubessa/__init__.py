"""
Kubessa renders templated Kubernetes manifests, expands Kustomize overlays and applies the resulting objects to a
cluster using server-side apply.
"""

__version__ = "0.1.0"
