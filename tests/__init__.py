"""Tests for the Workout Rotation integration."""
