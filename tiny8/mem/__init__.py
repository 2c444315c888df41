from .memory import Memory, MEMORY_SIZE
