"""RabbitMQ Admin API: cluster administration backend with write-operation auditing."""

__version__ = "0.1.0"
