from dataclasses import dataclass, field


@dataclass(slots=True)
class Platform:
    """A platform on which an image can run."""

    architecture: str
    os: str
    digest: str
    media_type: str = ""
    os_version: str = ""
    os_features: list[str] = field(default_factory=list)
    features: list[str] = field(default_factory=list)
    variant: str = ""
    size: int = 0


@dataclass(slots=True)
class Image:
    """An identifiable resource in a repository.

    An Image can be identified by a tag or a digest.
    A tag (e.g. "latest") can move between images.
    A digest is unique within the repository and does not change
    unless the image is deleted.
    An image resolved by its digest carries no tag.
    """

    digest: str = ""
    domain: str = ""
    repository: str = ""
    tag: str = ""
    platforms: list[Platform] = field(default_factory=list)

    def __str__(self):
        name = f"{self.domain}/{self.repository}"
        if self.tag:
            return f"{name}:{self.tag}"
        return f"{name}@{self.digest}"
