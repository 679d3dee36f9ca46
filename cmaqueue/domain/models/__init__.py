"""Domain models: options, queue jobs, retry policy and collection shapes."""
