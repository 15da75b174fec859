from setuptools import setup, find_packages

with open('requirements.txt') as f:
    requirements = f.readlines()

with open('test-requirements.txt') as f:
    test_requirements = f.readlines()

setup(name='review-trigger-service',
      description='Reports the aggregated verdict of triggered builds back to code review',
      version='1.0.0',
      classifiers=[
          "Programming Language :: Python :: 3",
          "Topic :: Software Development :: Build Tools"
      ],
      keywords='code review gerrit build trigger verdict',
      author='FIXME',
      author_email='FIXME',
      license='MIT',
      packages=find_packages(exclude=['tests', 'tests.*']),
      include_package_data=True,
      zip_safe=False,
      python_requires='>=3.8',
      install_requires=requirements,
      tests_require=test_requirements,
      extras_require={'test': test_requirements},
      entry_points={
          'console_scripts': ['review_trigger_service = review_trigger_service.manage:cli']
      },
      data_files=[('etc/review-trigger-service/', ['conf/config.py']),
                  ('etc/review-trigger-service/fedmsg.d/', ['fedmsg.d/review_trigger_service.py']),
                  ],
      )
