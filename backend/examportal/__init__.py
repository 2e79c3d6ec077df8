"""Exam Portal backend package"""
