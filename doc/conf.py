# Configuration file for the Sphinx documentation builder.
#
# https://www.sphinx-doc.org/en/master/usage/configuration.html

# -- Path setup --------------------------------------------------------------

import os
import sys
sys.path.insert(0, os.path.abspath('../src'))

import tabular_adp


# -- Project information -----------------------------------------------------

project = 'tabular-adp'
release = tabular_adp.__version__


# -- General configuration ---------------------------------------------------

add_module_names = False

extensions = [
    'sphinx.ext.autodoc',
    'sphinx.ext.autosummary',
    'sphinx.ext.napoleon',
    'sphinx_math_dollar',
    'sphinx.ext.mathjax',
    'sphinx_rtd_theme',
]

# Leave $...$ to sphinx_math_dollar
mathjax3_config = {
    'tex2jax': {
        'inlineMath': [["\\(", "\\)"]],
        'displayMath': [["\\[", "\\]"]],
    },
}

autosummary_generate = True

autodoc_default_options = {
    'members': True,
    'special-members': '__init__',
    'private-members': False,
    'inherited-members': False,
    'undoc-members': True,
    'exclude-members': '__weakref__',
}

templates_path = ['_templates']
exclude_patterns = ['_build', 'Thumbs.db', '.DS_Store']


# -- Options for HTML output -------------------------------------------------

html_theme = 'sphinx_rtd_theme'
