"""Intervention Engine - Services"""
