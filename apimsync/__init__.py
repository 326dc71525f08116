"""
apimsync
--------
Copies API metadata between Apigee, Azure API Management, AWS API Gateway
and Apigee API Hub through a common "general" JSON record kept on disk.
"""

__version__ = "0.1.6"
