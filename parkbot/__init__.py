"""Command-line runner, scheduler and configuration for the Buntzen Lake parking bot."""
