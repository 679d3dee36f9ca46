"""Console adapters: rich display and progress reporters."""
