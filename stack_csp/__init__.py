"""
Stack CSP - Content-Security-Policy 1.0 header compiler and middleware
"""

__version__ = "0.1.0"

from stack_csp.policy import Config, Directive, Policy, PolicyKind

__all__ = ['Config', 'Directive', 'Policy', 'PolicyKind']
