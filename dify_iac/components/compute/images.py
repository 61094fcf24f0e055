"""
Container image references for Dify services.

Public registry: langgenius/<image>:<tag> on Docker Hub.
Custom ECR repository: every image lives in one repository, tagged
<image>_<tag> (e.g. dify-api_1.4.0).
"""

import pulumi
import pulumi_aws as aws

from dify_iac.configs.base import CustomRepositoryImages, ImageTags, PublicRegistryImages
from dify_iac.configs.constants import PUBLIC_IMAGE_REPOSITORIES


def image_tag(tags: ImageTags, image: str) -> str:
    """Tag of one of the Dify images ('web', 'api', 'sandbox', 'plugin-daemon')."""
    if image == "sandbox":
        return tags.sandbox
    if image == "plugin-daemon":
        return tags.plugin_daemon
    return tags.dify


def image_reference(
    images: PublicRegistryImages | CustomRepositoryImages,
    image: str,
    repository_url: str | None = None,
) -> str:
    """
    Full image reference for a Dify image.

    Args:
        images: Image source variant
        image: One of 'web', 'api', 'sandbox', 'plugin-daemon'
        repository_url: ECR repository URL (custom repository only)

    Raises:
        KeyError: If image is not a Dify image
    """
    repository = PUBLIC_IMAGE_REPOSITORIES[image]
    tag = image_tag(images.tags, image)
    if isinstance(images, CustomRepositoryImages):
        base_name = repository.split("/", 1)[1]
        return f"{repository_url}:{base_name}_{tag}"
    return f"{repository}:{tag}"


def resolve_image(
    images: PublicRegistryImages | CustomRepositoryImages,
    image: str,
    parent: pulumi.Resource | None = None,
) -> pulumi.Output[str]:
    """Image reference, looking the ECR repository up when one is configured."""
    if isinstance(images, CustomRepositoryImages):
        repository = aws.ecr.get_repository_output(
            name=images.repository_name,
            opts=pulumi.InvokeOptions(parent=parent),
        )
        return repository.repository_url.apply(lambda url: image_reference(images, image, url))
    return pulumi.Output.from_input(image_reference(images, image))
