"""
Configuration module for the docker packager.

Loads all configuration from environment variables with sensible defaults.
"""

import os

DEFAULT_TEMPLATE = os.path.join(os.path.dirname(__file__), "templates", "Dockerfile.j2")


class Config:
    """
    Packager configuration from environment variables.

    Loads all configuration values from environment variables with sensible defaults.
    All settings can be overridden by setting the corresponding environment variable.
    """

    def __init__(self):
        """
        Initialize configuration from environment variables.

        Environment Variables:
            LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO
            PACKAGE_DIR: Directory the final archive is written to. Default: ./pkg
            BUILD_TOOL: Image build tool executable. Default: docker
            PRIVILEGE_WRAPPER: Root-emulation shim wrapping the build tool. Default: fakeroot
            DESCRIPTOR_FILENAME: Name of the rendered build descriptor. Default: Dockerfile
            DOCKERFILE_TEMPLATE: Path to the descriptor template. Default: bundled template
            BASE_IMAGE: Base image referenced by the descriptor. Default: scratch
            IMAGE_TAG: Image tag override. Default: derived from package name and version
            BUILD_TIMEOUT: Build timeout in seconds. Default: none (wait indefinitely)
        """
        # Logging
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

        # Output
        self.PACKAGE_DIR = os.getenv("PACKAGE_DIR", os.path.join(os.getcwd(), "pkg"))

        # Image build
        self.BUILD_TOOL = os.getenv("BUILD_TOOL", "docker")
        self.PRIVILEGE_WRAPPER = os.getenv("PRIVILEGE_WRAPPER", "fakeroot")
        self.DESCRIPTOR_FILENAME = os.getenv("DESCRIPTOR_FILENAME", "Dockerfile")
        self.DOCKERFILE_TEMPLATE = os.getenv("DOCKERFILE_TEMPLATE", DEFAULT_TEMPLATE)
        self.BASE_IMAGE = os.getenv("BASE_IMAGE", "scratch")
        self.IMAGE_TAG = os.getenv("IMAGE_TAG") or None

        timeout = os.getenv("BUILD_TIMEOUT")
        self.BUILD_TIMEOUT = int(timeout) if timeout else None  # seconds

    def __repr__(self):
        """String representation for logging."""
        return (
            f"Config(LOG_LEVEL={self.LOG_LEVEL}, "
            f"PACKAGE_DIR={self.PACKAGE_DIR}, "
            f"BUILD_TOOL={self.BUILD_TOOL}, "
            f"PRIVILEGE_WRAPPER={self.PRIVILEGE_WRAPPER}, "
            f"BUILD_TIMEOUT={self.BUILD_TIMEOUT})"
        )


# Global config instance
config = Config()
