"""Backend helpers for LayerStack"""
