"""
Cita Previa Checker - watches the ICP appointment site and emails the operator
"""
__version__ = "1.0.0"
