"""Domain Events: facts about queue jobs and retries, published as they happen."""
