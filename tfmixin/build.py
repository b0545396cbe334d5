"""Dockerfile lines emitted for `build`."""

from typing import List

from .config import MixinConfig

RELEASES_URL = "https://releases.hashicorp.com/terraform"


def dockerfile_lines(config: MixinConfig) -> List[str]:
    """
    Lines the host appends to the bundle's Dockerfile.

    Installs the pinned terraform client. When an init file is configured,
    it is copied in and `terraform init -backend=false` runs at build time
    so provider plugins are cached in the image.
    """
    version = config.client_version
    archive = f"terraform_{version}_linux_amd64.zip"

    lines = [
        "RUN apt-get update && apt-get install -y wget unzip && \\",
        f" wget {RELEASES_URL}/{version}/{archive} --progress=dot:giga && \\",
        f" unzip {archive} -d /usr/bin && \\",
        f" rm {archive}",
    ]

    if config.init_file:
        working_dir = config.working_dir.rstrip("/")
        lines.extend([
            f"COPY {working_dir}/{config.init_file} $BUNDLE_DIR/{working_dir}/",
            f"RUN cd $BUNDLE_DIR/{working_dir} && \\",
            " terraform init -backend=false && \\",
            " rm -fr .terraform/providers && \\",
            " terraform providers mirror /usr/local/share/terraform/plugins",
        ])

    return lines


def render_dockerfile(config: MixinConfig) -> str:
    return "\n".join(dockerfile_lines(config)) + "\n"
