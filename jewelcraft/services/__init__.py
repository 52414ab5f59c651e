"""
Design, pricing and validation services
"""
