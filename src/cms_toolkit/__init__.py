"""CMS Toolkit command line front end."""
