"""KafkaOperation resource model and a reconciler that resets Kafka topics."""

__version__ = "1.0.22"
__all__ = ["types", "controller"]