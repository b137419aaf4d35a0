"""Swap domain - swap offers and the coordinator that creates and resolves them"""
