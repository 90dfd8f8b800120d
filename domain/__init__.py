"""Domain layer for the visitor pass service"""
