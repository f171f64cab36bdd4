"""Publisher interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import StrEnum
from pathlib import Path

from inkpress.exceptions import PublishError


class Target(StrEnum):
    """Available hosting targets."""

    DIRECTORY = "directory"
    GIT = "git"


class SitePublisher(ABC):
    """Publishes a built output tree, replacing whatever was published before."""

    target: Target

    @abstractmethod
    def publish(self, output_dir: Path) -> str:
        """Publish *output_dir* and return a description of where it went.

        Raises:
            PublishError: If the tree could not be published.
        """

    @staticmethod
    def check_output(output_dir: Path) -> None:
        """Refuse to publish a missing or empty tree."""
        if not output_dir.is_dir():
            raise PublishError(f"Nothing to publish: {output_dir} does not exist")
        if not any(output_dir.iterdir()):
            raise PublishError(f"Nothing to publish: {output_dir} is empty")
