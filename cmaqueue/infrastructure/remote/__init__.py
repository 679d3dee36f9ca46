"""Remote API adapters implementing the remote space interfaces."""
