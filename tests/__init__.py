"""Tests for the Sonoff DIY integration."""
