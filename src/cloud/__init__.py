"""
Cloud control module
"""

from .govee_cloud import GoveeCloudClient

__all__ = ['GoveeCloudClient']
