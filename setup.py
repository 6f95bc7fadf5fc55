"""
Setup script for openldap-facade.
"""

from setuptools import setup, find_packages

setup(
    name="openldap-facade",
    version="0.1.0",
    description="Thin object-oriented facade over an OpenLDAP directory",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "ldap3>=2.9",
        "pydantic>=2.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
)
