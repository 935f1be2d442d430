"""Sphinx configuration for listcollection documentation."""

from importlib.metadata import version as get_version

# -- Project information -----------------------------------------------------
project = 'listcollection'
release = get_version('listcollection')
version = '.'.join(release.split('.')[:2])

# -- General configuration ---------------------------------------------------
extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.napoleon',
    'sphinx.ext.viewcode',
    'sphinx.ext.intersphinx',
]

exclude_patterns = ['_build']

# -- Options for HTML output -------------------------------------------------
html_theme = 'sphinx_rtd_theme'
html_title = f'listcollection {release}'

# -- Napoleon configuration --------------------------------------------------
napoleon_google_docstring = True
napoleon_numpy_docstring = False

# -- Intersphinx configuration -----------------------------------------------
intersphinx_mapping = {
    'python': ('https://docs.python.org/3', None),
}

# -- Autodoc configuration ---------------------------------------------------
autodoc_typehints = 'description'
autodoc_member_order = 'groupwise'
autodoc_default_options = {
    'members': True,
    'special-members': '__init__, __getitem__, __setitem__, __delitem__',
}
