from setuptools import find_packages, setup

with open("./README.md", encoding='utf-8') as in_:
    setup(
        name='xlsxwriter-sheetdsl',
        version='0.1.0',
        packages=find_packages(where='src'),
        package_dir={
            "": "src"
        },
        package_data={
            'xlsxwriter_sheetdsl': ['*.lark'],
        },
        license='MIT',
        description='A templating language for generating Excel files with XlsxWriter from structured data by '
                    'describing rows, merged cells and styles relative to a moving cursor.',
        long_description=in_.read(),
        long_description_content_type="text/markdown",
        python_requires='>=3.8',
        install_requires=[
            "attrs",
            "xlsxwriter>=3.1.10",
            "lark>=1.1",
        ],
        extras_require={
            'testing': ['pytest', 'pytest-mock']
        },
    )
