"""Stripe payment webhook processor."""
