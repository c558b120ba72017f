"""Import domain - CSV uploads"""
