"""
Message formats supported by emlformat.
"""
