"""
sslchains — identify related SSL keys, CSRs and certificates.

Reads PEM files, groups keys, certificate signing requests and certificates
by public key, and orders certificates into signer chains by issuer/subject
name rather than by file name or file order.

Built on the Railway-Oriented Programming (ROP) framework for
explicit, composable, functional error handling.
"""

__version__ = "0.1.0"
