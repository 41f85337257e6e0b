"""Cache engine: caches, FIFO replacement, RAM and the access orchestrator."""
