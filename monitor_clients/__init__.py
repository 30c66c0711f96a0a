"""
Monitor Clients module.

HTTP adapters for the external collaborators of the poller: the Jenkins
masters being monitored, the echo event endpoint and the discovery service
reporting this instance's status.
"""

from .discovery import DiscoveryHealthOracle
from .echo import EchoEventSink
from .jenkins import JenkinsMasters, MasterConfig, UnknownMasterError

__all__ = [
    "DiscoveryHealthOracle",
    "EchoEventSink",
    "JenkinsMasters",
    "MasterConfig",
    "UnknownMasterError",
]
