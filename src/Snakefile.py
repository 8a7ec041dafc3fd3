include: "Snakefile_const.py"

PRESETS = [p.stem for p in sorted(CONFIG.glob("*.json"))]

rule all:
    input:
        expand(END / "{preset}.csv", preset=PRESETS),
        expand(END / "figures/{preset}.png", preset=PRESETS),

rule optimize_palette:
    '''solve one preset; fails the rule when no palette exists'''
    input:
        cfg = CONFIG / "{preset}.json",
    output:
        palette = END / "{preset}.json",
        table = END / "{preset}.csv",
    log:
        LOG / "optimize_{preset}.log",
    shell:
        """
        python optimize_palette.py \
            --config-json {input.cfg} \
            --out-json {output.palette} \
            --out-csv {output.table} \
            --no-render > {log} 2>&1
        """

rule plot_palette:
    input:
        palette = END / "{preset}.json",
    output:
        png = END / "figures/{preset}.png",
    shell:
        """
        python plot_palette.py {input.palette} --out {output.png}
        """
