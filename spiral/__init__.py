"""Spiral engine - metrics, derivations, timers, narrator and badges."""
