"""Billing domain services: gateway adapters, proration and the orchestrator."""
