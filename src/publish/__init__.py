"""Publisher factory and registry."""

from __future__ import annotations

from inkpress.config import InkpressConfig
from inkpress.exceptions import PublishError
from inkpress.publish.base import SitePublisher, Target


def create_publisher(config: InkpressConfig, target: Target | str | None = None) -> SitePublisher:
    """Create a publisher for the configured hosting target.

    Args:
        config: Site configuration; the ``[deploy]`` section is used.
        target: Override for ``[deploy] target``.

    Returns:
        A SitePublisher instance for the target.

    Raises:
        PublishError: If the target is unknown or not fully configured.
    """
    deploy = config.deploy
    raw = target if target is not None else deploy.target
    try:
        target = Target(raw)
    except ValueError:
        valid = ", ".join(t.value for t in Target)
        raise PublishError(f"Unknown deploy target {raw!r} (valid: {valid})") from None

    from inkpress.publish.directory import DirectoryPublisher
    from inkpress.publish.git import GitBranchPublisher

    if target == Target.DIRECTORY:
        if not deploy.directory:
            raise PublishError("No deploy directory configured ([deploy] directory)")
        return DirectoryPublisher(config.resolve(deploy.directory))

    if target == Target.GIT:
        return GitBranchPublisher(
            deploy.remote,
            deploy.branch,
            commit_message=deploy.commit_message,
            timeout=deploy.git_timeout,
        )

    raise PublishError(f"Unknown deploy target: {target!r}")


__all__ = ["SitePublisher", "Target", "create_publisher"]
