"""
Interface indicating that a class requires a JobUpdatePublisher.
"""

import abc
from typing import Any


class INeedJobUpdatePublisherInterface(abc.ABC):
    """
    Interface indicating that a class requires a JobUpdatePublisher.
    """

    @property
    def job_update_publisher(self) -> Any:
        """
        Property to get the JobUpdatePublisher instance.
        Default implementation returns the stored `_job_update_publisher` attribute or None.
        """
        return getattr(self, "_job_update_publisher", None)

    @job_update_publisher.setter
    def job_update_publisher(self, value: Any) -> None:
        """
        Property setter to set the JobUpdatePublisher instance.
        Stores the provided value on the instance as `_job_update_publisher`.
        """
        setattr(self, "_job_update_publisher", value)
