"""Tryout service for the learning-management system."""
