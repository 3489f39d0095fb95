# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Erasure-coding policy disabler.

Oozie's sharelib and workflow directories must use plain replication: files
written under an erasure-coding policy cannot be appended to or hflushed.
:func:`check` switches a directory back to the ``replication`` policy when
the filesystem supports erasure coding at all.

The filesystem is any client exposing ``get_erasure_coding_policy(path)`` and
``set_erasure_coding_policy(path, policy_name)`` (see
:class:`ErasureCodingFileSystem`).  Clients that lack these methods (older
HDFS, local or object stores) are reported as ``NOT_SUPPORTED``.
"""

from __future__ import annotations

import enum
from typing import Any, Protocol, runtime_checkable

import structlog

logger = structlog.get_logger("oozieweb.tools.ec")

REPLICATION_POLICY_NAME: str = "replication"


class Result(enum.Enum):
    DONE = "done"
    ALREADY_SET = "already_set"
    NOT_SUPPORTED = "not_supported"
    NO_SUCH_METHOD = "no_such_method"


class RpcErrorCode(enum.Enum):
    """Subset of Hadoop RPC error codes that the disabler distinguishes."""

    ERROR_APPLICATION = "ERROR_APPLICATION"
    ERROR_NO_SUCH_METHOD = "ERROR_NO_SUCH_METHOD"
    ERROR_NO_SUCH_PROTOCOL = "ERROR_NO_SUCH_PROTOCOL"
    ERROR_RPC_SERVER = "ERROR_RPC_SERVER"


class RemoteException(Exception):
    """Error reported by the NameNode for a remote call."""

    def __init__(self, class_name: str, message: str, error_code: RpcErrorCode | None = None) -> None:
        super().__init__(message)
        self.class_name = class_name
        self.error_code = error_code


@runtime_checkable
class ErasureCodingFileSystem(Protocol):
    def get_erasure_coding_policy(self, path: Any) -> Any: ...
    def set_erasure_coding_policy(self, path: Any, policy_name: str) -> None: ...


def _policy_name(policy: Any) -> str | None:
    if policy is None or isinstance(policy, str):
        return policy
    return getattr(policy, "name", None)


def _is_no_such_method(exc: BaseException) -> bool:
    """``True`` if *exc* or its cause is a remote NO_SUCH_METHOD error."""
    for candidate in (exc, exc.__cause__):
        if isinstance(candidate, RemoteException) and candidate.error_code is RpcErrorCode.ERROR_NO_SUCH_METHOD:
            return True
    return False


def check(fs: Any, path: Any) -> Result:
    """Make sure *path* on *fs* uses the replication policy.

    Returns:
        ``NOT_SUPPORTED`` when *fs* has no erasure-coding API,
        ``ALREADY_SET`` when the policy is already replication,
        ``NO_SUCH_METHOD`` when the server does not implement the call,
        ``DONE`` after switching the policy.

    Raises:
        Exception: Any other error from the filesystem is propagated unchanged.
    """
    if not isinstance(fs, ErasureCodingFileSystem):
        logger.info("ec_not_supported", reason="filesystem has no erasure coding API")
        return Result.NOT_SUPPORTED

    logger.info("ec_disable_start", path=str(path))
    try:
        current = fs.get_erasure_coding_policy(path)
    except Exception as exc:
        if _is_no_such_method(exc):
            logger.info("ec_no_such_method", call="get_erasure_coding_policy")
            return Result.NO_SUCH_METHOD
        raise

    if _policy_name(current) == REPLICATION_POLICY_NAME:
        logger.info("ec_already_replication", path=str(path))
        return Result.ALREADY_SET

    try:
        fs.set_erasure_coding_policy(path, REPLICATION_POLICY_NAME)
    except Exception as exc:
        if _is_no_such_method(exc):
            logger.info("ec_no_such_method", call="set_erasure_coding_policy")
            return Result.NO_SUCH_METHOD
        raise

    logger.info("ec_disable_done", path=str(path))
    return Result.DONE
