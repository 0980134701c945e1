# === NAVMAP v1 ===
# {
#   "module": "ArDriveHTTP.concurrency.__init__",
#   "purpose": "Executor factory shared by the async offload pool and the isolated worker pool.",
#   "sections": []
# }
# === /NAVMAP ===

"""
Concurrency helpers shared across ArDriveHTTP components.

Currently exposes :func:`create_executor` which maps an execution policy to
an executor (IO → threads, isolated → spawned processes).
"""

from .executors import create_executor

__all__ = ["create_executor"]
