#!/usr/bin/env python

import logging
import sys
import mpcomposer.info

if sys.hexversion < 0x03060000:
    logging.error("mpcomposer requires Python Version 3.6 (or greater)")
else:
    from setuptools import setup

    with open('README.rst') as f:
        long_description = f.read()

    setup(name=mpcomposer.info.name,
          version=mpcomposer.info.version,
          description=mpcomposer.info.title,
          long_description=long_description,
          url=mpcomposer.info.home,
          packages=['mpcomposer',
                    'mpcomposer.http'],
          python_requires='>=3.6',
          classifiers=['Development Status :: 3 - Alpha',
                       'Intended Audience :: Developers',
                       'Natural Language :: English',
                       'License :: OSI Approved :: BSD License',
                       'Operating System :: OS Independent',
                       'Programming Language :: Python',
                       'Programming Language :: Python :: 3',
                       'Topic :: Internet :: WWW/HTTP',
                       'Topic :: Software Development :: '
                       'Libraries :: Python Modules']
          )
