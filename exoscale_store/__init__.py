"""Exoscale SKS kubeconfig store for multi-cluster context switchers."""

__version__ = "0.1.0"
