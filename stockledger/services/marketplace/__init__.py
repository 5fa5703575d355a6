"""Marketplace feed and price services"""
