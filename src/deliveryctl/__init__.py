"""deliveryctl — food-delivery order store with rule hooks and savepoints."""

__version__ = "0.1.0"
