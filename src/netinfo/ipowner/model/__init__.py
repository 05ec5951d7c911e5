"""
Data Models

Pydantic models shared by the resolution core and the web application layer.

Key Components:
- rdap.py: RDAP response objects, remarks and the ownership result/error pair
"""
