"""
couch_cluster - Form a CouchDB cluster through each node's /_cluster_setup endpoint
"""
__version__ = "0.1.0"
