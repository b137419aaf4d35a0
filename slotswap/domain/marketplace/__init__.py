"""Marketplace domain - read-only view of tradable slots"""
