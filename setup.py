from setuptools import setup, find_packages
import re

# Read version from gmailbox/__init__.py
with open('gmailbox/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='gmailbox',
    version=version,
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.10',
    install_requires=[
        'google-api-python-client>=2.0',
        'google-auth',
        'google-auth-httplib2',
        'google-auth-oauthlib',
        'httplib2',
        'aiosmtplib>=2.0',
        'python-dotenv',
        'click>=8.0',
        'PyYAML',
    ],
    extras_require={
        'test': ['pytest', 'pytest-asyncio'],
    },
    entry_points={
        'console_scripts': [
            'gmailbox=gmailbox.cli.__main__:main',
        ],
    },
    author='CLI Developer',
    description='Async Gmail mailbox facade - labels, messages, attachments and SMTP sending.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
