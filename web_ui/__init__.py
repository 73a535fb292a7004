"""LayerStack web interface"""
