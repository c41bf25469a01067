"""Built-in plugins shipped with treefilter."""
