"""kubemc: list Kubernetes resources across many clusters at once.

Resource names are resolved from kubectl's discovery cache when possible,
falling back to live discovery, and one list request per cluster runs
concurrently.
"""

__version__ = "0.1.0"
