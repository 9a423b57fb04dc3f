"""Tests for the LifeTrack engine."""
