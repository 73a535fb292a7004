"""LayerStack Web API"""
