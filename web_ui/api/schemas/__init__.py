"""API request/response schemas"""
