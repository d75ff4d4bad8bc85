"""
Contains the manager to resolve needs for needy objects.
"""

from needs.INeedJobUpdatePublisher import INeedJobUpdatePublisherInterface


class ResolveNeedsManager:
    """
    Manager to resolve needs for needy objects.
    """

    @staticmethod
    def resolve_needs(needy_instance: object, job_update_publisher=None):
        """
        Resolve needs for the given needy object (instance of a class).
        Only works with instances, not classes.

        The publisher is process-scoped and created at startup, so it is handed in
        rather than constructed here.
        """
        if isinstance(needy_instance, type):
            raise ValueError(
                "resolve_needs() only works with instances, not classes. "
                f"Received class: {needy_instance.__name__}"
            )

        # Check if the instance's class implements the publisher interface
        if INeedJobUpdatePublisherInterface in needy_instance.__class__.__mro__:
            if job_update_publisher is None:
                raise ValueError(
                    f"{needy_instance.__class__.__name__} needs a JobUpdatePublisher, "
                    "but none was provided"
                )
            needy_instance.job_update_publisher = job_update_publisher
