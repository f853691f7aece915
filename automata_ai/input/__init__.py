"""
Input components: actuator interface and virtual key implementation
"""
from automata_ai.input.actuator import Actuator, VirtualKeyActuator

__all__ = ['Actuator', 'VirtualKeyActuator']
