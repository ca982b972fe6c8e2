"""Session Codec Meta information.
   Session Codec turns session data into encrypted, tamper-evident cookie values.
"""
__title__ = 'session_codec'
__description__ = (
   'Session Codec turns session data into encrypted, '
   'tamper-evident and length-obscured cookie values.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2023 Jesus Lara'
__author__ = 'Jesus Lara'
__author_email__ = 'jesuslarag@gmail.com'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/phenobarbital/session-codec'
